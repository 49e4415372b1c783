"""
Shared pytest fixtures: sample SSIS packages written to temporary files.
"""
import pytest

SAMPLE_PACKAGE = r"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="www.microsoft.com/SqlServer/Dts"
  DTS:refId="Package"
  DTS:CreationName="Microsoft.Package"
  DTS:ObjectName="LoadCustomers"
  DTS:ExecutableType="Microsoft.Package">
  <DTS:Property DTS:Name="PackageFormatVersion">8</DTS:Property>
  <DTS:ConnectionManagers>
    <DTS:ConnectionManager DTS:refId="Package.ConnectionManagers[SharedDB]" DTS:CreationName="OLEDB" DTS:ObjectName="SharedDB">
      <DTS:ObjectData>
        <DTS:ConnectionManager DTS:ConnectionString="Data Source=db01;Initial Catalog=Sales;" />
      </DTS:ObjectData>
    </DTS:ConnectionManager>
    <DTS:ConnectionManager DTS:refId="Package.ConnectionManagers[Orders Queue]" DTS:CreationName="MSMQ" DTS:ObjectName="Orders Queue">
      <DTS:ObjectData>
        <MsmqConnectionManager ConnectionString="server01\private$\orders" />
      </DTS:ObjectData>
    </DTS:ConnectionManager>
    <DTS:ConnectionManager DTS:refId="Package.ConnectionManagers[SharedDB]" DTS:CreationName="OLEDB" DTS:ObjectName="SharedDB">
      <DTS:ObjectData>
        <DTS:ConnectionManager DTS:ConnectionString="Data Source=other;" />
      </DTS:ObjectData>
    </DTS:ConnectionManager>
  </DTS:ConnectionManagers>
  <DTS:Variables>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="Server">
      <DTS:VariableValue DTS:DataType="8">db01</DTS:VariableValue>
    </DTS:Variable>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="ConnStr" DTS:Expression="&quot;Server=&quot; + @[User::Server]">
      <DTS:VariableValue DTS:DataType="8">Server=@Server</DTS:VariableValue>
    </DTS:Variable>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="Loop">
      <DTS:VariableValue DTS:DataType="8">@Loop</DTS:VariableValue>
    </DTS:Variable>
  </DTS:Variables>
  <DTS:PackageParameters>
    <DTS:PackageParameter DTS:ObjectName="BatchSize" DTS:DataType="3" DTS:Required="True">
      <DTS:Property DTS:Name="ParameterValue">500</DTS:Property>
    </DTS:PackageParameter>
    <DTS:PackageParameter DTS:ObjectName="ApiKey" DTS:DataType="18" DTS:Sensitive="True" DTS:Description="Partner API key">
      <DTS:Property DTS:Name="ParameterValue">s3cret</DTS:Property>
    </DTS:PackageParameter>
  </DTS:PackageParameters>
  <DTS:Configurations>
    <DTS:Configuration DTS:ObjectName="XmlConfig" DTS:ConfigurationType="1" DTS:ConfigurationString="C:\config\sales.dtsConfig" />
    <DTS:Configuration DTS:ObjectName="SqlConfig" DTS:ConfigurationType="8" DTS:ConfigurationString="SharedDB;[dbo].[SSIS Configurations];Sales;" />
    <DTS:Configuration DTS:ObjectName="EnvConfig" DTS:ConfigurationType="6" DTS:ConfigurationString="SALES_CONFIG" />
  </DTS:Configurations>
  <DTS:Executables>
    <DTS:Executable DTS:refId="Package\Truncate Staging" DTS:CreationName="Microsoft.ExecuteSQLTask" DTS:ObjectName="Truncate Staging" DTS:Description="Clear staging tables">
      <DTS:Property DTS:Name="SqlCommand">TRUNCATE TABLE stg.Customers</DTS:Property>
    </DTS:Executable>
    <DTS:Executable DTS:refId="Package\Load Customers" DTS:CreationName="Microsoft.Pipeline" DTS:ObjectName="Load Customers" DTS:ExecutableType="Microsoft.Pipeline">
      <DTS:ObjectData>
        <pipeline version="1">
          <components>
            <component refId="Package\Load Customers\Customer Source" componentClassID="Microsoft.OLEDBSource" name="Customer Source" description="OLE DB Source">
              <properties>
                <property name="SqlCommand">SELECT Id, Name FROM dbo.Customers WHERE Region = 'A&amp;B'</property>
                <property name="AccessMode">2</property>
              </properties>
              <outputs>
                <output refId="Package\Load Customers\Customer Source.Outputs[OLE DB Source Output]" name="OLE DB Source Output">
                  <outputColumns>
                    <outputColumn name="Id" dataType="i4" />
                    <outputColumn name="Name" dataType="wstr" length="50" />
                  </outputColumns>
                </output>
                <output refId="Package\Load Customers\Customer Source.Outputs[OLE DB Source Error Output]" name="OLE DB Source Error Output" isErrorOut="true">
                  <outputColumns>
                    <outputColumn name="ErrorCode" dataType="i4" />
                  </outputColumns>
                </output>
              </outputs>
            </component>
            <component refId="Package\Load Customers\Derive &amp; Clean" componentClassID="Microsoft.SqlServer.Dts.Pipeline.DerivedColumnTransformation" name="Derive &amp; Clean" description="Derived Column">
              <properties>
                <property name="Expression">UPPER(Name)</property>
              </properties>
            </component>
            <component refId="Package\Load Customers\Customer Destination" componentClassID="Microsoft.SqlServer.Dts.Pipeline.OLEDBDestinationAdapter" name="Customer Destination" description="OLE DB Destination">
              <properties>
                <property name="TableOrViewName">[dbo].[DimCustomer]</property>
              </properties>
              <inputs>
                <input refId="Package\Load Customers\Customer Destination.Inputs[OLE DB Destination Input]" name="OLE DB Destination Input">
                  <inputColumns>
                    <inputColumn cachedName="Id" cachedDataType="i4" />
                    <inputColumn cachedName="Name" cachedDataType="wstr" cachedLength="50" />
                  </inputColumns>
                </input>
              </inputs>
            </component>
            <component refId="Package\Load Customers\CRM Writer" componentClassID="KingswaySoft.IntegrationToolkit.DynamicsCrm.CrmDestination" name="CRM Writer" description="Dynamics CRM Destination">
              <properties>
                <property name="Operation">Upsert</property>
                <property name="BatchSize">100</property>
              </properties>
            </component>
          </components>
          <paths>
            <path refId="Package\Load Customers.Paths[OLE DB Source Output]" startId="Package\Load Customers\Customer Source" endId="Package\Load Customers\Derive &amp; Clean" name="OLE DB Source Output" />
            <path refId="Package\Load Customers.Paths[Derived Column Output]" startId="Package\Load Customers\Derive &amp; Clean" endId="Package\Load Customers\Customer Destination" name="Derived Column Output" />
          </paths>
        </pipeline>
      </DTS:ObjectData>
    </DTS:Executable>
    <DTS:Executable DTS:refId="Package\Process Files" DTS:CreationName="Microsoft.ForEachLoop" DTS:ObjectName="Process Files" DTS:Description="Loop over inbox">
      <DTS:Property DTS:Name="Disabled">False</DTS:Property>
      <DTS:Property DTS:Name="FailPackageOnFailure">True</DTS:Property>
      <DTS:ForEachEnumerator DTS:CreationName="Microsoft.ForEachFileEnumerator" DTS:ObjectName="File Enumerator">
        <DTS:ObjectData>
          <ForEachFileEnumeratorProperties>
            <FEFEProperty Folder="C:\inbox" />
            <FEFEProperty FileSpec="*.csv" />
            <FEFEProperty Recurse="-1" />
          </ForEachFileEnumeratorProperties>
        </DTS:ObjectData>
      </DTS:ForEachEnumerator>
      <DTS:ForEachVariableMappings>
        <DTS:ForEachVariableMapping DTS:VariableName="User::CurrentFile" DTS:ValueIndex="0" />
      </DTS:ForEachVariableMappings>
      <DTS:Executables>
        <DTS:Executable DTS:refId="Package\Process Files\Archive File" DTS:CreationName="Microsoft.ScriptTask" DTS:ObjectName="Archive File">
          <DTS:ObjectData>
            <ScriptProject Name="ST_Archive" Language="CSharp">
              <ProjectItem Name="ScriptMain.cs" Encoding="UTF8"><![CDATA[public void Main() { File.Move(source, target); }]]></ProjectItem>
            </ScriptProject>
          </DTS:ObjectData>
        </DTS:Executable>
        <DTS:Executable DTS:refId="Package\Process Files\Cleanup" DTS:CreationName="Microsoft.Sequence" DTS:ObjectName="Cleanup">
          <DTS:Executables>
            <DTS:Executable DTS:refId="Package\Process Files\Cleanup\Delete File" DTS:CreationName="Microsoft.FileSystemTask" DTS:ObjectName="Delete File" />
          </DTS:Executables>
        </DTS:Executable>
      </DTS:Executables>
    </DTS:Executable>
    <DTS:Executable DTS:refId="Package\Retry" DTS:CreationName="Microsoft.ForLoop" DTS:ObjectName="Retry" DTS:Disabled="True"
      DTS:InitExpression="@Counter = 0" DTS:EvalExpression="@Counter &lt; 3" DTS:AssignExpression="@Counter = @Counter + 1" />
  </DTS:Executables>
  <DTS:PrecedenceConstraints>
    <DTS:PrecedenceConstraint DTS:refId="Package.PrecedenceConstraints[Constraint]" DTS:From="Package\Truncate Staging" DTS:To="Package\Load Customers" DTS:ObjectName="Constraint" />
  </DTS:PrecedenceConstraints>
  <DTS:EventHandlers>
    <DTS:EventHandler DTS:refId="Package.EventHandlers[OnError]" DTS:CreationName="OnError" DTS:EventName="OnError" DTS:ObjectName="OnError" DTS:ContainerID="Package">
      <DTS:Variables>
        <DTS:Variable DTS:Namespace="User" DTS:ObjectName="ErrorTarget">
          <DTS:VariableValue DTS:DataType="8">@Server</DTS:VariableValue>
        </DTS:Variable>
      </DTS:Variables>
      <DTS:Executables>
        <DTS:Executable DTS:refId="Package.EventHandlers[OnError]\Log Error" DTS:CreationName="Microsoft.ExecuteSQLTask" DTS:ObjectName="Log Error">
          <DTS:Property DTS:Name="SqlCommand">INSERT INTO dbo.ErrorLog VALUES (?)</DTS:Property>
        </DTS:Executable>
        <DTS:Executable DTS:refId="Package.EventHandlers[OnError]\Notify" DTS:CreationName="Microsoft.SendMailTask" DTS:ObjectName="Notify" />
      </DTS:Executables>
      <DTS:PrecedenceConstraints>
        <DTS:PrecedenceConstraint DTS:From="Package.EventHandlers[OnError]\Log Error" DTS:To="Package.EventHandlers[OnError]\Notify" DTS:Expression="@ErrorTarget == @Server" DTS:EvalOp="3" />
      </DTS:PrecedenceConstraints>
    </DTS:EventHandler>
  </DTS:EventHandlers>
</DTS:Executable>
"""

# SSIS 2008 layout: Property elements instead of attributes, no group elements
LEGACY_PACKAGE = r"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="www.microsoft.com/SqlServer/Dts" xmlns="www.microsoft.com/SqlServer/Dts" DTS:ExecutableType="MSDTS.Package.1">
  <DTS:Property DTS:Name="ObjectName">LegacyExport</DTS:Property>
  <DTS:ConnectionManager>
    <DTS:Property DTS:Name="ObjectName">SharedDB</DTS:Property>
    <DTS:Property DTS:Name="CreationName">OLEDB</DTS:Property>
    <DTS:ObjectData>
      <DTS:ConnectionManager>
        <DTS:Property DTS:Name="ConnectionString">Data Source=db01;Initial Catalog=Legacy;</DTS:Property>
      </DTS:ConnectionManager>
    </DTS:ObjectData>
  </DTS:ConnectionManager>
  <DTS:Configuration>
    <DTS:Property DTS:Name="ConfigurationType">5</DTS:Property>
    <DTS:Property DTS:Name="ConfigurationString">LEGACY_CONFIG_FILE</DTS:Property>
    <DTS:Property DTS:Name="ObjectName">IndirectXml</DTS:Property>
  </DTS:Configuration>
  <DTS:Variable>
    <DTS:Property DTS:Name="Namespace">User</DTS:Property>
    <DTS:Property DTS:Name="ObjectName">Server</DTS:Property>
    <DTS:VariableValue DTS:DataType="8">db02</DTS:VariableValue>
  </DTS:Variable>
  <DTS:Executable DTS:ExecutableType="SSIS.Pipeline.2">
    <DTS:Property DTS:Name="ObjectName">Export Orders</DTS:Property>
    <DTS:Property DTS:Name="DTSID">{A1}</DTS:Property>
    <DTS:ObjectData>
      <pipeline>
        <components>
          <component name="Orders" componentClassID="{BCEFE59B-6819-47F7-A125-63753B33ABB7}" description="OLE DB Source">
            <objectData>
              <pipelineComponent>
                <properties>
                  <property name="SqlCommand">SELECT * FROM dbo.Orders</property>
                </properties>
              </pipelineComponent>
            </objectData>
          </component>
        </components>
      </pipeline>
    </DTS:ObjectData>
  </DTS:Executable>
  <DTS:Executable DTS:ExecutableType="Microsoft.SqlServer.Dts.Tasks.ExecuteSQLTask.ExecuteSQLTask, Microsoft.SqlServer.SQLTask, Version=14.0.0.0, Culture=neutral, PublicKeyToken=89845dcd8080cc91">
    <DTS:Property DTS:Name="ObjectName">Mark Exported</DTS:Property>
    <DTS:Property DTS:Name="DTSID">{B2}</DTS:Property>
  </DTS:Executable>
  <DTS:PrecedenceConstraint>
    <DTS:Property DTS:Name="Value">0</DTS:Property>
    <DTS:Property DTS:Name="EvalOp">3</DTS:Property>
    <DTS:Property DTS:Name="Expression">@Server == "db02"</DTS:Property>
    <DTS:Property DTS:Name="ObjectName">Only On Primary</DTS:Property>
    <DTS:Executable IDREF="{A1}" DTS:IsFrom="-1"/>
    <DTS:Executable IDREF="{B2}" DTS:IsFrom="0"/>
  </DTS:PrecedenceConstraint>
  <DTS:EventHandler>
    <DTS:Property DTS:Name="EventName">OnError</DTS:Property>
    <DTS:Property DTS:Name="ObjectName">OnError</DTS:Property>
    <DTS:Variable>
      <DTS:Property DTS:Name="Namespace">User</DTS:Property>
      <DTS:Property DTS:Name="ObjectName">FailedServer</DTS:Property>
      <DTS:VariableValue DTS:DataType="8">@Server</DTS:VariableValue>
    </DTS:Variable>
    <DTS:Executable DTS:ExecutableType="Microsoft.SqlServer.Dts.Tasks.SendMailTask.SendMailTask, Microsoft.SqlServer.SendMailTask, Version=14.0.0.0, Culture=neutral, PublicKeyToken=89845dcd8080cc91">
      <DTS:Property DTS:Name="ObjectName">Page Operator</DTS:Property>
      <DTS:Property DTS:Name="DTSID">{C3}</DTS:Property>
    </DTS:Executable>
    <DTS:Executable DTS:ExecutableType="Microsoft.SqlServer.Dts.Tasks.ExecuteSQLTask.ExecuteSQLTask, Microsoft.SqlServer.SQLTask, Version=14.0.0.0, Culture=neutral, PublicKeyToken=89845dcd8080cc91">
      <DTS:Property DTS:Name="ObjectName">Log Failure</DTS:Property>
      <DTS:Property DTS:Name="DTSID">{D4}</DTS:Property>
    </DTS:Executable>
    <DTS:PrecedenceConstraint>
      <DTS:Property DTS:Name="EvalOp">1</DTS:Property>
      <DTS:Property DTS:Name="Expression">@FailedServer != ""</DTS:Property>
      <DTS:Property DTS:Name="ObjectName">Constraint</DTS:Property>
      <DTS:Executable IDREF="{C3}" DTS:IsFrom="-1"/>
      <DTS:Executable IDREF="{D4}" DTS:IsFrom="0"/>
    </DTS:PrecedenceConstraint>
  </DTS:EventHandler>
</DTS:Executable>
"""

NO_PIPELINE_PACKAGE = r"""<?xml version="1.0"?>
<DTS:Executable xmlns:DTS="www.microsoft.com/SqlServer/Dts" DTS:CreationName="Microsoft.Package" DTS:ObjectName="Housekeeping">
  <DTS:ConnectionManagers>
    <DTS:ConnectionManager DTS:CreationName="OLEDB" DTS:ObjectName="SharedDB">
      <DTS:ObjectData>
        <DTS:ConnectionManager DTS:ConnectionString="Data Source=db01;" />
      </DTS:ObjectData>
    </DTS:ConnectionManager>
    <DTS:ConnectionManager DTS:CreationName="SMTP" DTS:ObjectName="Mail">
      <DTS:ObjectData>
        <SmtpConnectionManager ConnectionString="SmtpServer=mail01;" />
      </DTS:ObjectData>
    </DTS:ConnectionManager>
  </DTS:ConnectionManagers>
  <DTS:Variables>
    <DTS:Variable DTS:Namespace="User" DTS:ObjectName="Server">
      <DTS:VariableValue DTS:DataType="8">db03</DTS:VariableValue>
    </DTS:Variable>
  </DTS:Variables>
  <DTS:Executables>
    <DTS:Executable DTS:CreationName="Microsoft.ExecuteSQLTask" DTS:ObjectName="Purge Logs" />
  </DTS:Executables>
</DTS:Executable>
"""

# Well-formed but nested deeper than the decoder can follow
DEEPLY_NESTED_PACKAGE = (
    "<Executable>" + "<Executables><Executable>" * 3000 + "</Executable></Executables>" * 3000 + "</Executable>"
)

# Well-formed prefix of a package, cut off in the middle of the pipeline
TRUNCATED_PACKAGE = SAMPLE_PACKAGE[:SAMPLE_PACKAGE.index("<paths>")]


@pytest.fixture
def sample_package_path(tmp_path):
    path = tmp_path / "LoadCustomers.dtsx"
    path.write_text(SAMPLE_PACKAGE, encoding="utf-8")
    return str(path)


@pytest.fixture
def legacy_package_path(tmp_path):
    path = tmp_path / "LegacyExport.dtsx"
    path.write_text(LEGACY_PACKAGE, encoding="utf-8")
    return str(path)


@pytest.fixture
def truncated_package_path(tmp_path):
    path = tmp_path / "Truncated.dtsx"
    path.write_text(TRUNCATED_PACKAGE, encoding="utf-8")
    return str(path)


@pytest.fixture
def package_directory(tmp_path):
    """Three valid packages (one nested, one upper-case extension), one corrupt, one unrelated file."""
    root = tmp_path / "packages"
    nested = root / "nightly"
    nested.mkdir(parents=True)
    (root / "LoadCustomers.dtsx").write_text(SAMPLE_PACKAGE, encoding="utf-8")
    (root / "Housekeeping.DTSX").write_text(NO_PIPELINE_PACKAGE, encoding="utf-8")
    (nested / "LegacyExport.dtsx").write_text(LEGACY_PACKAGE, encoding="utf-8")
    (root / "Broken.dtsx").write_text("<DTS:Executable><unclosed>", encoding="utf-8")
    (root / "notes.txt").write_text("not a package", encoding="utf-8")
    return str(root)
